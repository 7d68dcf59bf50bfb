import sys

from readonly_permissions.cli import main

sys.exit(main())
