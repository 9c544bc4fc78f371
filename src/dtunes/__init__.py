"""dtunes: a local media library for audio files, artists, genres, playlists and pomodoro sessions."""

__version__ = "0.1.0"
