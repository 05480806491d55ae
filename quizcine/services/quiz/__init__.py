"""Quiz domain services: content normalization, rooms, lifecycle, scoring.

This package contains pure domain logic that is called by the Socket.IO
handlers and HTTP routes. Operations mutate a ``Room`` and return the
messages to broadcast, keeping transport concerns out of game mechanics.
"""
