"""Infrastructure: settings, logging, exceptions and snapshot persistence."""
