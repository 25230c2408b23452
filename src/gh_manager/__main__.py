"""gh-manager: gh_manager/__main__.py.

Signed-plan driven backup, archive and deletion of a single account's
GitHub repositories.
"""

import sys

from .cli.dispatcher import main

if __name__ == "__main__":
    sys.exit(main())
