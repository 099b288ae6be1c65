import sys

from iotwifisim.cli import main

sys.exit(main())
