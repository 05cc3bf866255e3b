"""
providers — OAuth2 identity providers the broker can delegate to.

  • ``Service`` enumeration and the fixed endpoint/scope table
  • ``ClientConfig`` / ``OAuth2Client`` for authorization URLs and grants
"""
