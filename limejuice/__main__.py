# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""Entry point for python -m limejuice."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
