"""Push relay management CLI.

Creates and drops the relay's database schema and issues tenant API keys.

Usage:
    python src/manage.py setup-db
    python src/manage.py drop-db
    python src/manage.py issue-key --origin shop.example --created-by ops
    python src/manage.py deactivate-key <key>
"""

import argparse
import sys
from datetime import UTC, datetime, timedelta


def setup_database():
    from relay.domain import relay
    from relay.utils.db import setup_db

    print("Initializing relay domain...")
    relay.init()
    print("Creating relay database schema...")
    setup_db(relay)
    print("Done.")


def drop_database():
    from relay.domain import relay
    from relay.utils.db import drop_db

    print("Initializing relay domain...")
    relay.init()
    print("Dropping relay database schema...")
    drop_db(relay)
    print("Done.")


def issue_key(origin, capabilities=None, created_by=None, expires_in_days=None, environment=None):
    """Create a TenantKey and return it. The secret is only ever shown here."""
    from protean.utils.globals import current_domain

    from relay.config import ALL_CAPABILITIES
    from relay.domain import relay
    from relay.tenant.tenant_key import KeyEnvironment, TenantKey

    relay.init()
    with relay.domain_context():
        expires_at = datetime.now(UTC) + timedelta(days=expires_in_days) if expires_in_days else None
        tenant_key = TenantKey.issue(
            origin=origin,
            capabilities=capabilities or ALL_CAPABILITIES,
            created_by=created_by,
            expires_at=expires_at,
            environment=environment or KeyEnvironment.PRODUCTION.value,
        )
        current_domain.repository_for(TenantKey).add(tenant_key)
    return tenant_key


def deactivate_key(key):
    from protean.utils.globals import current_domain

    from relay.domain import relay
    from relay.tenant.tenant_key import TenantKey

    relay.init()
    with relay.domain_context():
        repo = current_domain.repository_for(TenantKey)
        tenant_key = repo.get(key)
        tenant_key.deactivate()
        repo.add(tenant_key)
    return tenant_key


def main():
    parser = argparse.ArgumentParser(description="Push relay management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    issue_parser = subparsers.add_parser("issue-key", help="Issue an API key for a tenant origin")
    issue_parser.add_argument("--origin", required=True, help="Origin the key is bound to, e.g. shop.example")
    issue_parser.add_argument(
        "--capability",
        dest="capabilities",
        action="append",
        choices=["notifications:send", "subscriptions:manage"],
        help="Capability to grant (repeatable, default: all)",
    )
    issue_parser.add_argument("--created-by", help="Operator issuing the key")
    issue_parser.add_argument("--expires-in-days", type=int, help="Expire the key after this many days")
    issue_parser.add_argument("--environment", choices=["development", "production"], default="production")

    deactivate_parser = subparsers.add_parser("deactivate-key", help="Deactivate an API key")
    deactivate_parser.add_argument("key")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "issue-key":
        tenant_key = issue_key(
            args.origin,
            capabilities=args.capabilities,
            created_by=args.created_by,
            expires_in_days=args.expires_in_days,
            environment=args.environment,
        )
        print(f"Issued key for {tenant_key.origin}: {tenant_key.key}")
        if tenant_key.expires_at:
            print(f"  expires at {tenant_key.expires_at.isoformat()}")
    elif args.command == "deactivate-key":
        tenant_key = deactivate_key(args.key)
        print(f"Deactivated key for {tenant_key.origin}.")
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
