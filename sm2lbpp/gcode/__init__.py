"""G-code scanning: byte tokenizer and motion interpreter."""
