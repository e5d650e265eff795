"""Game domain services: validation, ranking, game control and live updates.

This package contains the core game logic imported by HTTP routes and
socket handlers, keeping transport concerns separated from game mechanics.
"""
