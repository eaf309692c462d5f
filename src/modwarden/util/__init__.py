"""
Utility functions and helpers for Modwarden.

- **logger.py**: The `modwarden` logger tree, with a prompt_toolkit console
  handler and a rotating daily log file.
- **discord_utils.py**: Stateless Discord helpers for deletion, sanctions and
  mod-log channels.
"""
