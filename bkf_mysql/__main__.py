import sys

from bkf_mysql.main import main

sys.exit(main())
