"""
Use Cases

Organized by domain folder:
- password_reset/: Reset token issuance, validation and redemption
"""
