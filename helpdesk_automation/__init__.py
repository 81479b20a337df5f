"""
Helpdesk Automation System.

This package classifies IT helpdesk requests with keyword tables,
resolves routine tickets (password resets, account provisioning)
automatically, and backs a support chatbot, knowledge base search and
ticket dashboard.
"""

__version__ = "1.0.0"
__author__ = "Automation Engineer"
