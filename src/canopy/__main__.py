import sys

from src.canopy.cli import main

sys.exit(main())
