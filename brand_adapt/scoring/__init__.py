"""
Score engine: the 0–100 adaptation score and its three weighted components.

Modules
-------
engine : score_brand_consistency() + score_market_alignment() +
         score_audience_engagement() + determine_trend() + compute_score()
         — pure functions, no DB or I/O.
"""
