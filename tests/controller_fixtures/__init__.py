"""Controllers used by the controller loading tests."""
