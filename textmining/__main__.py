"""Allow ``python -m textmining``."""

from .cli import main

if __name__ == "__main__":
    main()
