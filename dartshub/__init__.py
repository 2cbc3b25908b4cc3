#===============================================================================
#  Darts_Hub_Core | __init__.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Core of the darts companion-app manager: app catalog, argument rendering,
#  process lifecycle and self-update.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from .constants import APP_VERSION

__version__ = APP_VERSION
