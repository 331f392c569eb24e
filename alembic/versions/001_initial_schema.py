"""Initial schema: users, trips, members, days, posts, comments, votes, images

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-09-02

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


COORDINATES_CHECK = (
    "(latitude IS NULL AND longitude IS NULL) "
    "OR (latitude BETWEEN -90 AND 90 AND longitude BETWEEN -180 AND 180)"
)

member_role = postgresql.ENUM('OWNER', 'MEMBER', name='member_role', create_type=False)
post_type = postgresql.ENUM('SUGGESTION', 'EVENT', 'CRAWL', name='post_type', create_type=False)


def upgrade() -> None:
    member_role.create(op.get_bind(), checkfirst=True)
    post_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('display_name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_seen_at', sa.DateTime(), nullable=True),
    )
    op.create_index(
        'ux_users_email_not_null',
        'users',
        ['email'],
        unique=True,
        postgresql_where=sa.text('email IS NOT NULL'),
    )

    op.create_table(
        'trips',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('join_code', sa.String(8), nullable=False),
        sa.Column('trip_name', sa.String(120), nullable=False),
        sa.Column('destination_name', sa.String(200), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('day_count', sa.Integer(), nullable=False),
        sa.Column('created_by_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('day_count BETWEEN 1 AND 60', name='ck_trips_day_count'),
    )
    op.create_unique_constraint('uq_trips_join_code', 'trips', ['join_code'])

    op.create_table(
        'trip_members',
        sa.Column('trip_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('trips.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('member_role', member_role, nullable=False, server_default='MEMBER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_trip_members_user_id', 'trip_members', ['user_id'])

    op.create_table(
        'trip_days',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('trip_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=False),
        sa.Column('trip_date', sa.Date(), nullable=True),
        sa.Column('label', sa.String(80), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('day_number BETWEEN 1 AND 60', name='ck_trip_days_day_number'),
    )
    op.create_unique_constraint('uq_trip_days_trip_id_day_number', 'trip_days', ['trip_id', 'day_number'])

    op.create_table(
        'feed_posts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('trip_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=True),
        sa.Column('author_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('post_type', post_type, nullable=False),
        sa.Column('title', sa.String(200), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('event_name', sa.String(200), nullable=True),
        sa.Column('from_time', sa.Time(), nullable=True),
        sa.Column('to_time', sa.Time(), nullable=True),
        sa.Column('location_name', sa.String(200), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ['trip_id', 'day_number'],
            ['trip_days.trip_id', 'trip_days.day_number'],
            name='fk_feed_posts_trip_day',
        ),
        sa.CheckConstraint(
            "post_type <> 'EVENT' OR ("
            "event_name IS NOT NULL AND from_time IS NOT NULL AND to_time IS NOT NULL "
            "AND to_time > from_time AND day_number IS NOT NULL)",
            name='ck_feed_posts_event_fields',
        ),
        sa.CheckConstraint(COORDINATES_CHECK, name='ck_feed_posts_coordinates'),
    )
    op.create_index('ix_feed_posts_trip_id_created_at', 'feed_posts', ['trip_id', 'created_at'])

    op.create_table(
        'feed_comments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('feed_post_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('feed_posts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('comment_body', sa.String(2000), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("trim(comment_body) <> ''", name='ck_feed_comments_body_not_blank'),
    )
    op.create_index('ix_feed_comments_feed_post_id_created_at', 'feed_comments', ['feed_post_id', 'created_at'])

    op.create_table(
        'post_votes',
        sa.Column('feed_post_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('feed_posts.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_post_votes_user_id', 'post_votes', ['user_id'])

    op.create_table(
        'feed_post_images',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('feed_post_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('feed_posts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('image_url', sa.String(500), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('sort_order >= 0', name='ck_feed_post_images_sort_order'),
    )
    op.create_index('ix_feed_post_images_feed_post_id', 'feed_post_images', ['feed_post_id'])


def downgrade() -> None:
    op.drop_index('ix_feed_post_images_feed_post_id', table_name='feed_post_images')
    op.drop_table('feed_post_images')
    op.drop_index('ix_post_votes_user_id', table_name='post_votes')
    op.drop_table('post_votes')
    op.drop_index('ix_feed_comments_feed_post_id_created_at', table_name='feed_comments')
    op.drop_table('feed_comments')
    op.drop_index('ix_feed_posts_trip_id_created_at', table_name='feed_posts')
    op.drop_table('feed_posts')
    op.drop_constraint('uq_trip_days_trip_id_day_number', 'trip_days', type_='unique')
    op.drop_table('trip_days')
    op.drop_index('ix_trip_members_user_id', table_name='trip_members')
    op.drop_table('trip_members')
    op.drop_constraint('uq_trips_join_code', 'trips', type_='unique')
    op.drop_table('trips')
    op.drop_index('ux_users_email_not_null', table_name='users')
    op.drop_table('users')

    post_type.drop(op.get_bind(), checkfirst=True)
    member_role.drop(op.get_bind(), checkfirst=True)
