"""
Questforge Test Suite
=====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with fakes and mocks (no database)
- tests/integration/   : Service tests against a real database engine
                         (SQLite files; PostgreSQL through testcontainers)

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test evaluation and issuance logic
- Integration tests: Exercise the claim ledger and transactions for real
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
