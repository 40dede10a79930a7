"""
Campaign table.

Display names of the fundraising campaigns and the numeric ids the
donation ledger contract records for them.
"""

DEFAULT_CAMPAIGNS: dict[str, int] = {
    "Clean Water Initiative": 1,
    "Zero Hunger Mission": 2,
    "Reforestation Project": 3,
    "Health & Relief Fund": 4,
    "Education for All": 5,
    "Animal Welfare Fund": 6,
}

DEFAULT_CAMPAIGN_NAME = "Clean Water Initiative"
