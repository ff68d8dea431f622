"""
Domain modules of the quest engine.

- oracles: protocols for external data sources and the guard around them
- quest: requirement evaluation, status resolution, claim ledger, reward issuance
- reward: community rewards bought or unlocked with community score
- effects: default SQL-backed collaborators that apply issued rewards
- shared: base service/repository and the domain exception hierarchy
"""
