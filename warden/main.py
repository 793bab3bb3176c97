"""
Warden - Main entry point.

Prints the access table of the example API after running the same
startup validation the server runs, so configuration mistakes show up
without starting anything.
"""

from __future__ import annotations

import sys

from warden.auth import ConfigurationError
from warden.config_loader import load_ownership_config
from warden.core.registry import get_registry


def describe() -> int:
    """
    Validate the example API's access configuration and print it.

    Returns a process exit code.
    """
    import warden.api.routes  # noqa: F401  (declares the rules)

    registry = get_registry()
    print("=" * 60)
    print("WARDEN ACCESS TABLE")
    print("=" * 60)
    print()

    try:
        count = load_ownership_config(registry=registry)
        print(f"  ✓ Loaded {count} ownership descriptors from config")
        registry.check()
    except ConfigurationError as e:
        print(f"  ✗ Configuration error: {e}")
        return 1

    print(f"  ✓ {len(registry.list_operations())} operations validated")
    print()

    for row in registry.describe():
        line = f"  • {row['operation']}: {row['level']}"
        if row.get("entity"):
            line += f" ({row['entity']} via {row['entity_id_param']}, owner {row['ownership']})"
        if row["skip"]:
            line += " [skip]"
        print(line)

    print()
    print("=" * 60)
    return 0


def main():
    """Main entry point."""
    sys.exit(describe())


if __name__ == "__main__":
    main()
