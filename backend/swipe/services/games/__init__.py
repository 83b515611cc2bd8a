"""Game domain services: rounds, deception timers and scoring.

Everything the HTTP routes and socket handlers need goes through the
registry, keeping transport concerns separated from the round state machine.
"""
