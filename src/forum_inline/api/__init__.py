# HTTP surface: app factory, middleware and routes
