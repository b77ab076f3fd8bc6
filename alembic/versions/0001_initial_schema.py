from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String, nullable=False),
        sa.Column('client_type_id', sa.Integer, nullable=False),
        sa.Column('profile', JSON_TYPE, nullable=True),
    )
    op.create_index('ix_tenants_client_type_id', 'tenants', ['client_type_id'])

    op.create_table(
        'questions',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String, nullable=False),
        sa.Column('type', sa.String, nullable=False),
        sa.Column('editable_by_client', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('system_default', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('active', sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_questions_type', 'questions', ['type'])

    op.create_table(
        'tenant_questions',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('name', sa.String, nullable=False),
        sa.Column('type', sa.String, nullable=False),
        sa.Column('nickname', sa.String, nullable=True),
        sa.Column('label_start', sa.String, nullable=True),
        sa.Column('label_end', sa.String, nullable=True),
    )
    op.create_index('ix_tenant_questions_tenant_id', 'tenant_questions', ['tenant_id'])

    op.create_table(
        'editable_question_answers',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('question_id', sa.Integer, sa.ForeignKey('questions.id'), nullable=False),
        sa.Column('name', sa.String, nullable=False),
        sa.Column('custom_answer', sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_editable_answers_lookup', 'editable_question_answers', ['tenant_id', 'question_id', 'name'])

    op.create_table(
        'survey_cycles',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('module_type', sa.String, nullable=False),
        sa.Column('name', sa.String, nullable=True),
        sa.Column('status', sa.String, nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_survey_cycles_tenant_id', 'survey_cycles', ['tenant_id'])

    op.create_table(
        'question_survey',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('survey_cycle_id', sa.Integer, sa.ForeignKey('survey_cycles.id'), nullable=False),
        sa.Column('module_type', sa.String, nullable=False),
        sa.Column('questionable_type', sa.String, nullable=False),
        sa.Column('questionable_id', sa.Integer, nullable=False),
    )
    op.create_index('ix_question_survey_survey_cycle_id', 'question_survey', ['survey_cycle_id'])

    op.create_table(
        'survey_invites',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('survey_cycle_id', sa.Integer, sa.ForeignKey('survey_cycles.id'), nullable=True),
        sa.Column('module_type', sa.String, nullable=False),
        sa.Column('status', sa.String, nullable=False, server_default='send'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_survey_invites_tenant_id', 'survey_invites', ['tenant_id'])
    op.create_index('ix_survey_invites_survey_cycle_id', 'survey_invites', ['survey_cycle_id'])
    op.create_index('ix_survey_invites_status', 'survey_invites', ['status'])

    op.create_table(
        'survey_answers',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('survey_invite_id', sa.Integer, sa.ForeignKey('survey_invites.id'), nullable=False),
        sa.Column('module_type', sa.String, nullable=False),
        sa.Column('questionable_type', sa.String, nullable=False),
        sa.Column('questionable_id', sa.Integer, nullable=False),
        sa.Column('question_type', sa.String, nullable=False),
        sa.Column('value', sa.Text, nullable=True),
        sa.Column('score', sa.SmallInteger, nullable=True),
        sa.Column('other_option_text', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_survey_answers_tenant_id', 'survey_answers', ['tenant_id'])
    op.create_index('ix_survey_answers_survey_invite_id', 'survey_answers', ['survey_invite_id'])
    op.create_index('ix_survey_answers_module_type', 'survey_answers', ['module_type'])
    op.create_index('ix_survey_answers_question_type', 'survey_answers', ['question_type'])
    op.create_index('ix_answers_questionable', 'survey_answers', ['questionable_type', 'questionable_id'])
    op.create_index('ix_answers_tenant_updated', 'survey_answers', ['tenant_id', 'updated_at'])

    op.create_table(
        'trackers',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, nullable=False),
        sa.Column('tenant_id', sa.Integer, sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('questionable_type', sa.String, nullable=False),
        sa.Column('questionable_id', sa.Integer, nullable=False),
        sa.Column('module_type', sa.String, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'questionable_type', 'questionable_id', 'module_type',
                            name='uq_tracker_user_question_module'),
    )
    op.create_index('ix_trackers_user_id', 'trackers', ['user_id'])
    op.create_index('ix_trackers_tenant_id', 'trackers', ['tenant_id'])


def downgrade():
    op.drop_table('trackers')
    op.drop_table('survey_answers')
    op.drop_table('survey_invites')
    op.drop_table('question_survey')
    op.drop_table('survey_cycles')
    op.drop_table('editable_question_answers')
    op.drop_table('tenant_questions')
    op.drop_table('questions')
    op.drop_table('tenants')
