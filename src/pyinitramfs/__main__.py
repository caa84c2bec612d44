import sys

from pyinitramfs.main import main

sys.exit(main())
