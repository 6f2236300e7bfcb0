"""Allow `python -m image_crawler`."""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
