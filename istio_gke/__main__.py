import sys

from istio_gke.cli import main

sys.exit(main())
