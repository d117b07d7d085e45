"""Allow running as: python -m hostlog.cli"""

import sys

from hostlog.cli.hostlogctl import main

if __name__ == "__main__":
    sys.exit(main())
