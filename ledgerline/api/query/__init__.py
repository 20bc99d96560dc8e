"""Timeline, search and object query resources."""
