"""Persistence layer: ORM models for quests, claim ledgers and reward effects."""
