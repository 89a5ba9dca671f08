import sys

from lottie_bundle.cli import main

sys.exit(main())
