"""Pure HTML/text composition for emails and owner-facing pages."""
