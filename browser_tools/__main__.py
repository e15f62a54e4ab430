import sys

from browser_tools.main import main

sys.exit(main())
