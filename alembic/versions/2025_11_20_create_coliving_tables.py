from alembic import op
import sqlalchemy as sa

revision = "4c1d7a2e9b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("firebase_uid", sa.String(128), unique=True),
        sa.Column("password", sa.String(255)),
        sa.Column("phone", sa.String(20)),
        sa.Column("aadhar_no", sa.String(12), nullable=False, unique=True),
        sa.Column("aadhar_image_url", sa.String),
        sa.Column("aadhar_verified", sa.Boolean, server_default=sa.false()),
        sa.Column("user_type", sa.String(20)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("uq_users_email_lower", "users", [sa.text("lower(email)")], unique=True)

    op.create_table(
        "residents",
        sa.Column("resident_id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("property_location", sa.String(255)),
        sa.Column("rent", sa.Numeric(10, 2)),
        sa.Column("description", sa.Text),
        sa.Column("religious_pref", sa.String(100)),
        sa.Column("roommate_food_pref", sa.String(20)),
        sa.Column("smokes", sa.Boolean),
        sa.Column("drinks", sa.Boolean),
        sa.Column("roommate_smokes_ok", sa.Boolean),
        sa.Column("roommate_drinks_ok", sa.Boolean),
        sa.Column("roommate_age_pref", sa.String(50)),
        sa.Column("roommate_gender_pref", sa.String(20)),
        sa.Column("environment_pref", sa.String(20)),
        sa.Column("curfew_time", sa.String(50)),
        sa.Column("works", sa.Boolean),
        sa.Column("roommate_night_ok", sa.Boolean),
        sa.Column("profession", sa.String(100)),
        sa.Column("relationship_status", sa.String(20)),
        sa.Column("roommate_pets_ok", sa.Boolean),
        sa.Column("cleanliness", sa.String(20)),
        sa.Column("roommate_cooking_pref", sa.String(20)),
        sa.Column("roommate_guests_ok", sa.Boolean),
        sa.Column("extra_requirements", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "roommates",
        sa.Column("roommate_id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("current_location", sa.String(255)),
        sa.Column("cultural_pref", sa.String(100)),
        sa.Column("food_type", sa.String(20)),
        sa.Column("smokes", sa.Boolean),
        sa.Column("drinks", sa.Boolean),
        sa.Column("dietary_restrictions", sa.Text),
        sa.Column("roommate_smokes_ok", sa.Boolean),
        sa.Column("roommate_drinks_ok", sa.Boolean),
        sa.Column("roommate_age_pref", sa.String(50)),
        sa.Column("roommate_gender_pref", sa.String(20)),
        sa.Column("environment_pref", sa.String(20)),
        sa.Column("curfew_time", sa.String(50)),
        sa.Column("owns_pets", sa.Boolean),
        sa.Column("pet_details", sa.Text),
        sa.Column("profession", sa.String(100)),
        sa.Column("work_study_schedule", sa.String(20)),
        sa.Column("roommate_night_ok", sa.Boolean),
        sa.Column("relationship_status", sa.String(20)),
        sa.Column("profession_pref", sa.String(20)),
        sa.Column("cleanliness", sa.String(20)),
        sa.Column("cooking_pref", sa.String(20)),
        sa.Column("extra_expectations", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "matches",
        sa.Column("match_id", sa.Integer, primary_key=True),
        sa.Column("resident_id", sa.Integer, sa.ForeignKey("residents.resident_id", ondelete="CASCADE"), nullable=False),
        sa.Column("roommate_id", sa.Integer, sa.ForeignKey("roommates.roommate_id", ondelete="CASCADE"), nullable=False),
        sa.Column("compatibility_score", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("matched_on", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("resident_id", "roommate_id", name="uq_matches_pair"),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'rejected')", name="ck_matches_status"),
    )

    op.create_table(
        "chat_rooms",
        sa.Column("chat_room_id", sa.Integer, primary_key=True),
        sa.Column("user1_id", sa.Integer, sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("user2_id", sa.Integer, sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user1_id", "user2_id", name="uq_chat_rooms_pair"),
        sa.CheckConstraint("user1_id <= user2_id", name="ck_chat_rooms_ordered"),
    )

    op.create_table(
        "messages",
        sa.Column("message_id", sa.Integer, primary_key=True),
        sa.Column("chat_room_id", sa.Integer, sa.ForeignKey("chat_rooms.chat_room_id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer, sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("message_text", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_messages_room_created", "messages", ["chat_room_id", "created_at"])


def downgrade():
    op.drop_index("ix_messages_room_created", table_name="messages")
    op.drop_table("messages")
    op.drop_table("chat_rooms")
    op.drop_table("matches")
    op.drop_table("roommates")
    op.drop_table("residents")
    op.drop_index("uq_users_email_lower", table_name="users")
    op.drop_table("users")
