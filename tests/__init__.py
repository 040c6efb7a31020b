"""
Test suite for tokensale

Contains:
- tests/unit/          : Unit tests for domain models, ledger, assets, vesting,
                         registry, allocator, sale engine and state contracts
"""
