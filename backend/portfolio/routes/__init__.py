# Routes package init
"""
Photography Portfolio Backend — API Routes Package
===================================================

Route Inventory:
    - auth.py:      POST /api/auth/login, POST /api/auth/logout,
                    GET  /api/auth/me,    POST /api/auth/refresh
    - payments.py:  POST /api/stripe/checkout, GET /api/stripe/success,
                    GET  /api/stripe/cancel,   POST /api/stripe/webhook
    - admin.py:     GET  /api/admin/bookings,  GET /api/admin/bookings/{id}
    - health.py:    GET  /health

Routes stay thin: they read the request, call one service and shape the
response. Business rules live in portfolio.services.
"""
