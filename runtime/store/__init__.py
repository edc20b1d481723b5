"""
Storage abstractions for the call relay runtime.

Includes:
- SessionStore: bounded in-memory session storage (LRU + TTL)
- LogStore: structured event log for relay lifecycle events
"""
