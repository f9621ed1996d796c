import sys

from mediasort.cli import main

sys.exit(main())
