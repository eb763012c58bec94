"""HTML Arcade - upload, moderate and play browser games."""
