"""Add post challenges and crawl stops with their images and challenges

Revision ID: 002_add_challenges_and_crawl
Revises: 001_initial_schema
Create Date: 2026-09-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '002_add_challenges_and_crawl'
down_revision: Union[str, None] = '001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


COORDINATES_CHECK = (
    "(latitude IS NULL AND longitude IS NULL) "
    "OR (latitude BETWEEN -90 AND 90 AND longitude BETWEEN -180 AND 180)"
)
COMPLETION_STATE_CHECK = (
    "(is_completed AND completed_by_user_id IS NOT NULL) "
    "OR (NOT is_completed AND completed_by_user_id IS NULL)"
)


def upgrade() -> None:
    op.create_table(
        'feed_post_challenges',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('feed_post_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('feed_posts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('tagged_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('challenge_text', sa.String(500), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_by_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("trim(challenge_text) <> ''", name='ck_feed_post_challenges_text_not_blank'),
        sa.CheckConstraint(COMPLETION_STATE_CHECK, name='ck_feed_post_challenges_completion_state'),
    )
    op.create_index('ix_feed_post_challenges_feed_post_id', 'feed_post_challenges', ['feed_post_id'])

    op.create_table(
        'feed_post_crawl_locations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('feed_post_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('feed_posts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('location_name', sa.String(200), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('sort_order >= 0', name='ck_feed_post_crawl_locations_sort_order'),
        sa.CheckConstraint("trim(location_name) <> ''", name='ck_feed_post_crawl_locations_name_not_blank'),
        sa.CheckConstraint(COORDINATES_CHECK, name='ck_feed_post_crawl_locations_coordinates'),
    )
    op.create_index('ix_feed_post_crawl_locations_feed_post_id', 'feed_post_crawl_locations', ['feed_post_id'])

    op.create_table(
        'feed_post_crawl_location_images',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'crawl_location_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('feed_post_crawl_locations.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('image_url', sa.String(500), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('sort_order >= 0', name='ck_feed_post_crawl_location_images_sort_order'),
    )
    op.create_index(
        'ix_feed_post_crawl_location_images_crawl_location_id',
        'feed_post_crawl_location_images',
        ['crawl_location_id'],
    )

    op.create_table(
        'feed_post_crawl_location_challenges',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'crawl_location_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('feed_post_crawl_locations.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('author_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('challenge_text', sa.String(500), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_by_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("trim(challenge_text) <> ''", name='ck_feed_post_crawl_location_challenges_text_not_blank'),
        sa.CheckConstraint(COMPLETION_STATE_CHECK, name='ck_feed_post_crawl_location_challenges_completion_state'),
    )
    op.create_index(
        'ix_feed_post_crawl_location_challenges_crawl_location_id',
        'feed_post_crawl_location_challenges',
        ['crawl_location_id'],
    )


def downgrade() -> None:
    op.drop_index(
        'ix_feed_post_crawl_location_challenges_crawl_location_id',
        table_name='feed_post_crawl_location_challenges',
    )
    op.drop_table('feed_post_crawl_location_challenges')
    op.drop_index(
        'ix_feed_post_crawl_location_images_crawl_location_id',
        table_name='feed_post_crawl_location_images',
    )
    op.drop_table('feed_post_crawl_location_images')
    op.drop_index('ix_feed_post_crawl_locations_feed_post_id', table_name='feed_post_crawl_locations')
    op.drop_table('feed_post_crawl_locations')
    op.drop_index('ix_feed_post_challenges_feed_post_id', table_name='feed_post_challenges')
    op.drop_table('feed_post_challenges')
