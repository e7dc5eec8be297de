"""CLI command groups for gsc_data.

Command groups:
- auth: Account and token management
- properties: Property discovery
- report: Search Analytics reports
"""
