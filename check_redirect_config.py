#!/usr/bin/env python3
"""
Quick script to check the redirect configuration and, optionally, where a
user would be routed.

Usage:
    # With environment variables set:
    export REDIRECT_DBI_DATA_SOURCE=sqlite:///var/lib/redirect/users.db
    export REDIRECT_DBI_LOCATION=/dir
    export REDIRECT_DBI_DEFAULT=/dir.1
    export REDIRECT_DBI_TABLE2URI="t1 /dir.2 t2 /dir.3"
    python check_redirect_config.py

    # Resolve a user against the live database:
    python check_redirect_config.py --user alice --path /dir/page.html
"""
import argparse
import os
import sys

# Add current directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import Config
from errors import RedirectDBIError
from membership_store import MembershipStore
from resolver import Matched, ResolutionContext, Resolver
from rewriter import Rewriter


def print_config(config: Config):
    """Print the loaded configuration. The password is never shown."""
    print("=" * 60)
    print("Configuration Status (from Config class)")
    print("=" * 60)
    print()
    print(f"Data Source:     {config.get_data_source()}")
    print(f"Username:        {config.get_username() or '(none)'}")
    print(f"Location:        {config.get_location()}")
    print(f"Default:         {config.get_default() or '(document root)'}")
    print(f"Document Root:   {config.get_document_root()}")
    print(f"Directory Index: {config.get_directory_index()}")
    print(f"Query Timeout:   {config.get_query_timeout()}s")
    print()

    rules = config.get_table_rules()
    if not rules:
        print("No table rules configured. Every user is sent to the default.")
        return

    print("Table rules (first match wins):")
    for i, rule in enumerate(rules, 1):
        print(f"  {i}. {rule}")


def check_user(config: Config, user: str, path: str):
    """Resolve a user against the store and show the rewrite decision."""
    resolver = Resolver(MembershipStore.from_config(config))
    rewriter = Rewriter(config.get_document_root())
    context = ResolutionContext(
        identity=user,
        rules=config.get_table_rules(),
        default_destination=config.get_default(),
        location=config.get_location(),
    )

    result = resolver.resolve(context.identity, context.rules)
    destination = context.destination_for(result)

    print("=" * 60)
    print(f"Routing for user '{user}'")
    print("=" * 60)
    if isinstance(result, Matched):
        print(f"✓ Found in table '{result.table}'")
    else:
        print("✗ Not found in any table, using default")
    print(f"Destination: {destination or '(document root)'}")
    print(f"Decision for {path}: {rewriter.decide(path, context.location, destination)}")


def main():
    parser = argparse.ArgumentParser(description='Check redirect configuration')
    parser.add_argument('--user', help='Resolve this user against the database')
    parser.add_argument('--path', help='Request path to rewrite (default: the location)')
    args = parser.parse_args()

    try:
        config = Config()
        print_config(config)
        if args.user:
            print()
            check_user(config, args.user, args.path or config.get_location())
    except RedirectDBIError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
