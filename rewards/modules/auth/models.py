# Supabase Auth
# This module uses Supabase's built-in authentication system for identities.
# Supabase Auth handles:
# - Identity registration (auth.users table)
# - Login and session management
# - JWT token generation and validation
# - Password hashing and security

"""
Supabase Auth provides:
- auth.sign_up() - Register new identities
- auth.sign_in_with_password() - Authenticate
- auth.get_user() - Get current identity from JWT token
- auth.sign_out() - Logout
- auth.admin.list_users() - Page through identities (service role; used by reconciliation)
- auth.admin.update_user_by_id() - Set app_metadata.role (service role; used by promote_admin)

An identity in auth.users is not an application user until OnboardingService
has created its public.users and public.user_profiles rows. Metadata passed at
sign-up (full_name, phone_number, referral_code) lands in raw_user_meta_data
and is read back by onboarding.
"""
