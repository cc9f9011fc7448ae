"""DB Builder command line tool."""
