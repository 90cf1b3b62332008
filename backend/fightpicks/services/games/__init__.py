"""Game domain services: picks, results, scoring and standings.

This package contains the rules layer that should be imported by HTTP
routes and CLI commands, keeping transport concerns separated from the
pick lifecycle and scoring state machine.
"""
