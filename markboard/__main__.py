import sys

from markboard.app import main

sys.exit(main())
