"""Game domain services: turn order, prep turns, words and combat.

This package contains the session coordinator's domain logic, imported by
HTTP routes and socket handlers, keeping transport concerns separated from
core game mechanics. Every function takes the session store it works on.
"""
