"""
delegation — OAuth2 authorization-code delegation and token lifecycle.

Provides:
  • App directory (client credentials per service)
  • Exchange ledger (single-use OAuth ``state`` records)
  • Token store (grant exchange, upsert, refresh rotation)
  • DelegationService tying the three together
"""
