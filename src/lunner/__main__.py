import sys

from lunner.app.main import main

sys.exit(main())
