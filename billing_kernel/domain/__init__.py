"""Pure billing domain: value objects and the injectable clock."""
