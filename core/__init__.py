"""Core domain modules.

- accounts: paper account lifecycle, templates and the reset sequence
- execution: paper trade executor and the live exchange connector (dry-run by default)
- market_data: CoinGecko quotes, the price cache, its refresher and the mock feed
- notifications: account notifications and the table change channel
- settings: per-user key/value settings
- sentiment: synthetic social sentiment snapshots
- ai: chat assistant and its LLM providers
- health: database and market data status
- storage: SQLAlchemy-backed tables and stored procedures
"""
