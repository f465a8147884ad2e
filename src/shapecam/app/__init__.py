"""Camera application: settings and the shapecam command line."""
