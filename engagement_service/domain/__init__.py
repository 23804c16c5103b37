"""
Domain layer - entities, repository contracts and errors
"""
