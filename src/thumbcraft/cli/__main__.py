"""CLI entry point for thumbcraft.cli module.

Enables execution via: python -m thumbcraft.cli
"""

from thumbcraft.cli.recover_jobs import main

if __name__ == "__main__":
    raise SystemExit(main())
