"""Routing: prefix patterns compiled into a trie.

Routes are registered during setup and frozen when the app starts
serving; no registration happens while traffic is live.
"""
