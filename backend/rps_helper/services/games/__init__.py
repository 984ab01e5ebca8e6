"""Game domain services: claiming, the session state machine, timers,
outcome resolution and finalization.

Transport and HTTP concerns stay in the package root; these modules only
talk to the transport through the adapter they are given.
"""
