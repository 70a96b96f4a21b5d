# Supabase tables: planning_groups, planning_participants, planning_ideas,
# planning_idea_votes, planning_events, planning_event_participants
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

planning_groups:
- id: uuid (primary key)
- coach_id: uuid (foreign key to users.id, not null, on delete cascade)
- name: varchar(255) (not null)
- access_token: varchar (not null, unique) - 12 char share token
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

planning_participants:
- id: uuid (primary key)
- group_id: uuid (foreign key to planning_groups.id, on delete cascade)
- name: varchar(100) (not null, unique per group ignoring case)
- color: varchar(7) (nullable, #RRGGBB)
- created_at: timestamp (default: now())

planning_ideas:
- id: uuid (primary key)
- group_id: uuid (foreign key to planning_groups.id, on delete cascade)
- participant_id: uuid (foreign key to planning_participants.id, on delete cascade)
- title: varchar(500) (not null)
- description: text (nullable)
- suggested_dates: date[] (nullable)
- location: varchar(255) (nullable)
- promoted_to_event_id: uuid (foreign key to planning_events.id, nullable, on delete set null)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

planning_idea_votes:
- id: uuid (primary key)
- idea_id: uuid (foreign key to planning_ideas.id, on delete cascade)
- participant_id: uuid (foreign key to planning_participants.id, on delete cascade)
- created_at: timestamp (default: now())
- unique constraint on (idea_id, participant_id)

planning_events:
- id: uuid (primary key)
- group_id: uuid (foreign key to planning_groups.id, on delete cascade)
- created_by: uuid (foreign key to planning_participants.id, nullable)
- title: varchar(500) (not null)
- description: text (nullable)
- start_date: date (not null)
- end_date: date (nullable, not before start_date)
- location, city, country: varchar(255) (nullable)
- is_archived: boolean (default: false)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

planning_event_participants:
- id: uuid (primary key)
- event_id: uuid (foreign key to planning_events.id, on delete cascade)
- participant_id: uuid (foreign key to planning_participants.id, on delete cascade)
- created_at: timestamp (default: now())
- unique constraint on (event_id, participant_id)
"""
