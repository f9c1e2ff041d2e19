import sys

from bodyosc.main import main

sys.exit(main())
