"""BurnDuel: дуэль на ставку с одной «горящей» картой в колоде."""
