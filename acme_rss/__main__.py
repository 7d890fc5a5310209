import sys

from acme_rss.main import main

sys.exit(main())
