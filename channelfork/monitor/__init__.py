"""Rich terminal rendering of fork engine runs."""
