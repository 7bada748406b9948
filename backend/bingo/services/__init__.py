"""Bingo domain services: rooms, players, cards, chat and option generation.

Imported by HTTP blueprints and Socket.IO handlers, keeping transport
concerns separated from the core game mechanics.
"""
