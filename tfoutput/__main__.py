import sys

from tfoutput.cli.main import main

sys.exit(main())
