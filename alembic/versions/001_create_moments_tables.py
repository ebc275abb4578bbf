"""Create Pet Moments tables

Revision ID: 001
Revises: 
Create Date: 2025-06-02 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Owner profiles and pets are shared with the rest of the portal
    op.create_table('pet_owner_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('user_id', sa.String(length=255), nullable=True, comment='Identity provider user id'),
        sa.Column('full_name', sa.String(length=200), nullable=True, comment='Display name'),
        sa.Column('profile_picture_url', sa.String(length=500), nullable=True, comment='Avatar URL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_index('ix_pet_owner_profiles_created_at', 'pet_owner_profiles', ['created_at'])

    op.create_table('patients',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['pet_owner_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_patients_owner_id', 'patients', ['owner_id'])
    op.create_index('ix_patients_created_at', 'patients', ['created_at'])

    # Follow graph
    op.create_table('owner_follows',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('follower_owner_id', sa.Integer(), nullable=False),
        sa.Column('following_owner_id', sa.Integer(), nullable=False),
        sa.CheckConstraint('follower_owner_id <> following_owner_id', name='ck_owner_follows_no_self_follow'),
        sa.ForeignKeyConstraint(['follower_owner_id'], ['pet_owner_profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['following_owner_id'], ['pet_owner_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('follower_owner_id', 'following_owner_id', name='uq_owner_follows_pair')
    )
    op.create_index('ix_owner_follows_follower_owner_id', 'owner_follows', ['follower_owner_id'])
    op.create_index('ix_owner_follows_following_owner_id', 'owner_follows', ['following_owner_id'])
    op.create_index('idx_owner_follows_following', 'owner_follows', ['following_owner_id'])
    op.create_index('ix_owner_follows_created_at', 'owner_follows', ['created_at'])

    # Posts
    op.create_table('pet_posts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('pet_owner_id', sa.Integer(), nullable=False, comment='Author'),
        sa.Column('patient_id', sa.Integer(), nullable=True, comment='Pet the post is about'),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('media_count', sa.Integer(), nullable=False),
        sa.Column('visibility', sa.Enum('public', 'owners_only', 'private', name='post_visibility'), nullable=False),
        sa.CheckConstraint('media_count >= 0', name='ck_pet_posts_media_count'),
        sa.ForeignKeyConstraint(['pet_owner_id'], ['pet_owner_profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_pet_posts_pet_owner_id', 'pet_posts', ['pet_owner_id'])
    op.create_index('ix_pet_posts_created_at', 'pet_posts', ['created_at'])
    op.create_index('idx_pet_posts_feed_order', 'pet_posts', ['created_at', 'id'])

    op.create_table('pet_post_media',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('media_url', sa.String(length=1000), nullable=False),
        sa.Column('media_type', sa.Enum('image', 'video', name='post_media_type'), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['pet_posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_pet_post_media_post_id', 'pet_post_media', ['post_id'])
    op.create_index('ix_pet_post_media_created_at', 'pet_post_media', ['created_at'])

    # Engagement
    op.create_table('pet_post_reactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('pet_owner_id', sa.Integer(), nullable=False),
        sa.Column('reaction', sa.Enum('like', name='post_reaction_kind'), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['pet_posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['pet_owner_id'], ['pet_owner_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('post_id', 'pet_owner_id', name='uq_pet_post_reactions_post_owner')
    )
    op.create_index('ix_pet_post_reactions_post_id', 'pet_post_reactions', ['post_id'])
    op.create_index('ix_pet_post_reactions_pet_owner_id', 'pet_post_reactions', ['pet_owner_id'])
    op.create_index('ix_pet_post_reactions_created_at', 'pet_post_reactions', ['created_at'])

    op.create_table('pet_post_comments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('pet_owner_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['pet_posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['pet_owner_id'], ['pet_owner_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_pet_post_comments_post_id', 'pet_post_comments', ['post_id'])
    op.create_index('ix_pet_post_comments_pet_owner_id', 'pet_post_comments', ['pet_owner_id'])
    op.create_index('ix_pet_post_comments_created_at', 'pet_post_comments', ['created_at'])
    op.create_index('idx_pet_post_comments_post_created', 'pet_post_comments', ['post_id', 'created_at'])

    # Notifications written by the feed
    op.create_table('notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('user_id', sa.String(length=255), nullable=False, comment='Identity provider user id of the recipient'),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('notification_type', sa.String(length=50), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('pet_post_comments')
    op.drop_table('pet_post_reactions')
    op.drop_table('pet_post_media')
    op.drop_table('pet_posts')
    op.drop_table('owner_follows')
    op.drop_table('patients')
    op.drop_table('pet_owner_profiles')

    # Drop enum types (no-op on SQLite)
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        op.execute("DROP TYPE IF EXISTS post_reaction_kind")
        op.execute("DROP TYPE IF EXISTS post_media_type")
        op.execute("DROP TYPE IF EXISTS post_visibility")
