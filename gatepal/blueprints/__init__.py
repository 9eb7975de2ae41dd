"""Console blueprints (auth, dashboard, societies, society admins)."""
