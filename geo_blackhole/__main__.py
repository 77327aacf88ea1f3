import sys

from geo_blackhole.main import main

sys.exit(main())
