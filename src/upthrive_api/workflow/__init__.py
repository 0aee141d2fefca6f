"""
Request Workflow Module

State machine for content requests moving between clients, managers and editors:
- Transition table keyed by (role, transition)
- Engine applying transitions through conditional updates
- asyncpg repositories for requests and profiles
"""

__version__ = "1.0.0"
