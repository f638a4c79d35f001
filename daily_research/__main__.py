import sys

from daily_research.cli import main

sys.exit(main())
