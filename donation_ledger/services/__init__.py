"""
Donation ledger services.

Campaign lookup, event reconciliation, live subscriptions and the donation
transaction workflow, wired together by DonationLedgerService.
"""
