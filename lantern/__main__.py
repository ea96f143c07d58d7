"""Allow ``python -m lantern`` as an alias for the ``lantern`` command."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
