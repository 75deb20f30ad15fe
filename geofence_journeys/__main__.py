import sys

from geofence_journeys.cli import main

if __name__ == "__main__":
    sys.exit(main())
