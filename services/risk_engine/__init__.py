"""Balance checks and trade cooldown."""
