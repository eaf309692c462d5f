"""
Modwarden - AI-Powered Discord Moderation Bot

Modwarden sends each guild message to an AI classifier, removes rule
violations, and keeps a per-user warning history that escalates to
automated sanctions.

Core Components:

- **Warning Engine**: Records violations, expires old warnings, and decides
  when a timeout, kick or ban threshold has been crossed
- **Record Store**: In-memory warning records mirrored to a JSON document or a
  SQLite database, with rotating backups and quarantine of invalid records
- **Classifier**: OpenAI-compatible chat completions client (Groq by default)
  returning a structured verdict per message
- **Bot Cogs**: Message moderation, lifecycle events, and the /warnings,
  /clearwarnings, /modstats and /forcesave commands
- **Interactive Console**: Live status, statistics and save controls

Usage:
    from modwarden.main import main
    main()  # Starts the bot with console interface
"""
