"""
JasaWeb - agency web-services platform API

A FastAPI service behind the JasaWeb marketing site, client portal and
admin back-office: authentication, projects, invoices, tickets, CMS
pages, blog posts, templates, pricing plans and dashboard analytics.
"""

__version__ = "0.1.0"
