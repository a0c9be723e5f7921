import sys

from rastermap.cli import main

sys.exit(main())
