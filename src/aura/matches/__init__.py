"""Match reporting, confirmation and recaps."""
