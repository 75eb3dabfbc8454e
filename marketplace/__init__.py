"""
Local Services Marketplace

This package contains the core Python services:
- shared: Database access, error taxonomy and structured logging
- auth: User registration, login and profile management
- geo: Haversine distance and radius filtering
- ranking: Provider priority scoring
- sentiment: Review comment classification (external model)
- tasks: Task lifecycle management
- reviews: Review store and provider rating aggregates
- matching: Provider search and provider task feed
"""
