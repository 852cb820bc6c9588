# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""`python -m ll2go` entry point."""

import sys

from ll2go.driver import main

sys.exit(main())
