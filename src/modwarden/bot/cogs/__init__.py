"""
Cogs package for Modwarden.

Each module defines a cog class and a setup function that registers it with
the bot together with its dependencies. The cogs are loaded explicitly in
main.py.
"""
