"""Domain value objects shared by the quest and reward services."""
