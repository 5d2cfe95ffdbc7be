"""Gift management: actions a gift buyer performs on the author account with a management token."""
