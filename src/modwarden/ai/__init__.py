"""AI message classification."""
