"""CLI entry point for questkit.cli module.

Enables execution via: python -m questkit.cli
"""

from questkit.cli.validate_quests import main

if __name__ == "__main__":
    main()
