#!/usr/bin/env python3
"""Reset the catalog to the sample dataset and delete all uploaded ROMs.

Same as the ``catalog-reset-db`` command; reads the store and upload
locations from the environment (DB_PATH, UPLOADS_DIR) or .env.
"""

import sys

from backend.modules.catalog.reset import main


if __name__ == "__main__":
    sys.exit(main())
