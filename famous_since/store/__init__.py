"""
Storefront services. Routes call into these; they talk to the database
through ``famous_since.models`` and to Stripe / image storage through the
addons.
"""
