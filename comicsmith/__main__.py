import sys

from comicsmith.cli import main

sys.exit(main())
