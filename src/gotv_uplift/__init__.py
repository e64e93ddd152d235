"""
GOTV uplift report.

Applies a multi-treatment uplift model to the get-out-the-vote mailer
experiment and reports turnout/cost tradeoff curves and variable importance.
"""

__version__ = "0.1.0"
