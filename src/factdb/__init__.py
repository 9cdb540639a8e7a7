""" factdb: fact driven rule matching and response selection. """
