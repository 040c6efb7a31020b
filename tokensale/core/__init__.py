"""
Core domain models, unit arithmetic, errors, and state contracts.

Independent of ledger execution: everything here is pure data and math.
"""
