"""Entry point for the Mogura CLI."""

from __future__ import annotations

from mogura.app import main as run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
