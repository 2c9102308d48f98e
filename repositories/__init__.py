"""Supabase persistence for prospects, conversations, applications and activity."""
