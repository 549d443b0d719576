from __future__ import annotations

import re
from decimal import Decimal

D = Decimal

# FX conversion fee charged on non-UK supplier spend (0.67%)
CURRENCY_FEE_RATE = D("0.0067")

WEEKS_PER_MONTH = D("4.33")
DAYS_PER_MONTH = 30
DAYS_PER_WEEK = 7

DEFAULT_PAYOUT_DAYS = 14
BUSINESS_PAYOUT_DAYS = 42
BUSINESS_WORDS = re.compile(r"(dell|lenovo|microsoft|hp|dock|docks|monitor)", re.IGNORECASE)

# an addition to a bundle may cost at most 5% of its monthly ROI
BUNDLE_ROI_TOLERANCE = D("0.95")

KG_PER_BOX = D("20")
CBM_PER_PALLET = D("1.2")
CM3_PER_M3 = D("1000000")

# exhaustive subset search scoring
SCORE_ROI_WEIGHT = D("1000")
SCORE_SPEND_WEIGHT = D("100")

ENGINE_VERSION = "3.1.0"
