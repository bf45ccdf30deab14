"""Allow ``python -m mintop``."""

from mintop.app import main

main()
