"""
Migration script to create the Steep tables.
Run this SQL in Supabase SQL Editor.
"""

SQL = """
-- Users and their inbound aliases
create table if not exists users (
  id uuid primary key default gen_random_uuid(),
  email text not null unique,
  name text not null,
  inbound_email text not null unique,
  plan text not null default 'trial'
    check (plan in ('trial', 'monthly', 'annual', 'lifetime', 'cancelled')),
  plan_expires_at timestamptz,
  digest_day text not null default 'saturday'
    check (digest_day in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')),
  created_at timestamptz default now()
);

-- Posts forwarded to an inbound alias
create table if not exists saved_posts (
  id uuid primary key default gen_random_uuid(),
  user_id uuid not null references users(id),
  source text not null default 'other' check (source in ('linkedin', 'substack', 'other')),
  author_name text not null default 'Unknown',
  author_headline text,
  title text,
  content text,
  original_url text,
  post_date timestamptz,
  tags text[] default '{}',
  raw_email jsonb,
  captured_at timestamptz not null default now()
);

create index if not exists saved_posts_user_captured_idx on saved_posts (user_id, captured_at desc);

-- One generated digest per user per week
create table if not exists weekly_digests (
  id uuid primary key default gen_random_uuid(),
  user_id uuid not null references users(id),
  week_start date not null,
  week_end date not null,
  post_count integer not null default 0,
  digest_content text not null,
  sent_at timestamptz,
  created_at timestamptz default now(),
  unique (user_id, week_start)
);

create index if not exists weekly_digests_user_week_idx on weekly_digests (user_id, week_start desc);

-- Single-use login tokens
create table if not exists magic_links (
  id uuid primary key default gen_random_uuid(),
  user_id uuid not null references users(id),
  token text not null unique,
  expires_at timestamptz not null,
  used boolean not null default false,
  created_at timestamptz default now()
);
"""

if __name__ == "__main__":
    print("Run this SQL in your Supabase SQL Editor:")
    print("=" * 60)
    print(SQL)
    print("=" * 60)
