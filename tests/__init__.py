"""
Test suite for pgmeta.

- unit/: composition, resolution and the column manager against a mocked
  execution channel
- integration/: the same operations against a live PostgreSQL server
  (needs PGMETA_TEST_DATABASE_URL)
"""
