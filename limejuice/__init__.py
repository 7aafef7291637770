# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2020-2026 The Limejuice Authors

"""
Limejuice SSL

Certificate authority and certificate issuance from declarative requests.
"""

__version__ = "0.1.0"
