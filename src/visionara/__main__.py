"""Entry point for 'python -m visionara'."""

from visionara.cli import main

if __name__ == "__main__":
    main()
