"""
Egg Battle - Simultaneous-move combat engine

A deterministic, rules-driven engine for a 2-N player battle royale where
every living participant secretly commits Attack, Egg, Sausage or Barrier
each round. The engine provides:
- Round resolution (reflects, cures, egg stacking, timers)
- An authoritative match controller and snapshot-driven replicas
- Scripted opponents
- A FastAPI service for remote play
"""

__version__ = "0.1.0"
