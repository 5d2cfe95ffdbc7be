"""Transactional email delivery.

Contains the notification models, the notifier abstraction, the Resend notifier and
the email templates.
"""
