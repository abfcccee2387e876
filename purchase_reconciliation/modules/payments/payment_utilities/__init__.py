"""
Pure payment helpers: status math (calculations), status labels and badge
colors (status), refund allocation and eligibility (refunds).
"""
