"""Database client dispatch: engine table and ephemeral client sessions."""
