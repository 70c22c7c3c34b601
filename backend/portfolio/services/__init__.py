# Services package init
"""
Photography Portfolio Backend — Services Layer
===============================================

What:  Business logic between the routes (HTTP) and the models (persistence).
How:   Services receive the request's AsyncSession per call and their
       configuration through constructors; none of them read settings or
       build HTTP responses.

Service Inventory:
    - passwords:        bcrypt hashing for the credential store
    - TokenService:     JWT issue / validate / refresh
    - AuthService:      login, profile, refresh, default-admin bootstrap
    - pricing:          hourly rate table and price computation
    - BookingLedger:    booking persistence and the paid transition
    - PaymentGateway:   abstract payment processor port
    - StripeGateway:    Stripe Checkout implementation of the port
    - CheckoutService:  pending booking + checkout session orchestration
    - WebhookService:   signed webhook verification and reconciliation

Submodules are imported directly (portfolio.services.token_service, ...).
This package must not import them: the models import portfolio.services.passwords.
"""
