"""Core domain package for botwarden.

Core contains the moderation policy, group state accessors and event routing
without any Telegram or Redis-specific code, keeping the business logic
portable.
"""
