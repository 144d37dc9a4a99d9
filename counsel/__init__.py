"""Krishna's Divine Counsel: a devotional chat relay with voice in and voice out."""
