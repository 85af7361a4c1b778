"""Operations dashboard backend: role-based access control over Supabase."""
