"""Account lifecycle endpoints: gift activation, email change, deletion, export and contact."""
