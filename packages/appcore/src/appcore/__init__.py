"""
appcore - shared infrastructure for the cardapio platform.

Provides settings, logging, the database store, the Redis client factory,
password hashing and the wall clock. Nothing here knows about tenants,
menus or orders.
"""
