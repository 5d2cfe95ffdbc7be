"""Narra serverless backend.

Provides the HTTP handlers that orchestrate Supabase, Stripe, Resend and OpenAI for the
Narra storytelling platform, the edge routing function that splits traffic between the
Flutter app and the blog SPA, and the client-side utilities shared by both frontends.
"""
