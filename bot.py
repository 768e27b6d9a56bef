#!/usr/bin/env python3
"""
Twitch Relay - Entry Point

Posts new Twitch streams for a game to a Discord webhook.
The actual implementation is in the twitchrelay package.
"""

if __name__ == "__main__":
    from twitchrelay import main
    main()
