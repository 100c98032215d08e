import sys

from kubecapture.cli import main

sys.exit(main())
