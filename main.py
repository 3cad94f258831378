import os
import sys

# Make the LexiRetriever package importable when run from a checkout
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from LexiRetriever.main import main

if __name__ == "__main__":
    sys.exit(main())
