"""Staff scheduling calendar for the studio: Azure Functions backend and headless client."""
