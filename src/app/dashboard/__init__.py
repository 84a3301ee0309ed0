"""Dashboard summary -- headline figures across shows, campaigns, talent, and money."""
