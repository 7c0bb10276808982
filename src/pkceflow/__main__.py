"""Allow ``python -m pkceflow``."""

from pkceflow.app import main

if __name__ == "__main__":
    main()
