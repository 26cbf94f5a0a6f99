"""Export Discord channels to PDF, HTML or Markdown."""
