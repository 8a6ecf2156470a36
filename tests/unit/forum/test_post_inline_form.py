"""
Unit tests for the inline post form (forum/post_inline_form.py, forum/forms.py).

Tests cover:
- Field set and order for replies, edits and discussion starters
- Subscription, pinned and group variants
- Threshold warning and editor options
- Form rules, cleaning and builder errors
"""

import pytest

from forum_inline.config import settings
from forum_inline.forum.capabilities import POST_TO_MY_GROUPS, CapabilityChecker, grant
from forum_inline.forum.forms import PARAM_INT, Form, FormField
from forum_inline.forum.post_inline_form import (
    EDITOR_UNLIMITED_FILES,
    FILE_EXTERNAL,
    FILE_INTERNAL,
    PostDraft,
    PostFormContext,
    PostInlineForm,
    ThresholdWarning,
    editor_options,
    get_user_max_upload_file_size,
)
from forum_inline.forum.service import ForumService
from forum_inline.forum.subscriptions import set_discussion_subscription
from forum_inline.storage.files import FileRecord, FileStorage
from forum_inline.storage.models import (
    FORUM_DISALLOWSUBSCRIBE,
    FORUM_FORCESUBSCRIBE,
    SEPARATEGROUPS,
    Course,
    Discussion,
    Forum,
    Group,
    GroupMember,
)

HIDDEN_FIELDS = ["course", "forum", "discussion", "parent", "groupid", "edit", "reply"]


@pytest.fixture
def records(db_session, forum_data):
    forum = db_session.get(Forum, forum_data.forum_id)
    course = db_session.get(Course, forum_data.course_id)
    discussion = db_session.get(Discussion, forum_data.discussion_id)
    return forum, course, discussion


def reply_draft(forum_data, **overrides):
    values = dict(
        course=forum_data.course_id,
        forum=forum_data.forum_id,
        discussion=forum_data.discussion_id,
        parent=forum_data.root_post_id,
    )
    values.update(overrides)
    return PostDraft(**values)


def build(db_session, user_id, draft, records, with_discussion=False):
    forum, course, discussion = records
    service = ForumService(db_session, user_id)
    return service.build_post_form(draft, forum, course, discussion if with_discussion else None)


class TestPostInlineFormFields:
    """Tests for the field set of PostInlineForm."""

    @pytest.mark.unit
    def test_student_reply_field_order(self, db_session, forum_data, records):
        form = build(db_session, forum_data.student_id, reply_draft(forum_data), records)

        assert form.names == [
            "subject",
            "morereplyingoptions",
            "message",
            "discussionsubscribe",
            "buttonar",
        ] + HIDDEN_FIELDS

    @pytest.mark.unit
    def test_subject_and_message_rules(self, db_session, forum_data, records):
        form = build(db_session, forum_data.student_id, reply_draft(forum_data), records)

        subject = form.field("subject")
        assert subject.attributes == {"size": "48"}
        assert [(rule.type, rule.argument) for rule in subject.rules] == [("required", None), ("maxlength", 255)]
        assert subject.rules[1].message == "Maximum of 255 characters"

        message = form.field("message")
        assert message.type == "editor"
        assert [rule.type for rule in message.rules] == ["required"]

    @pytest.mark.unit
    def test_more_options_link(self, db_session, forum_data, records):
        form = build(db_session, forum_data.student_id, reply_draft(forum_data), records)

        value = form.field("morereplyingoptions").value
        assert 'id="id_morereplyingoptions"' in value
        assert 'id="id_author"' in value
        assert "More replying options" in value

    @pytest.mark.unit
    def test_reply_hidden_defaults(self, db_session, forum_data, records):
        form = build(db_session, forum_data.student_id, reply_draft(forum_data), records)

        assert form.defaults["reply"] == forum_data.root_post_id
        assert form.defaults["parent"] == forum_data.root_post_id
        assert form.defaults["edit"] == 0
        assert form.defaults["groupid"] == -1
        assert all(form.field(name).param_type == PARAM_INT for name in HIDDEN_FIELDS)

    @pytest.mark.unit
    def test_edit_hidden_defaults_and_submit_label(self, db_session, forum_data, records):
        draft = reply_draft(
            forum_data, id=forum_data.reply_post_id, edit=True
        )
        form = build(db_session, forum_data.student_id, draft, records)

        assert form.defaults["edit"] == forum_data.reply_post_id
        assert form.defaults["reply"] == 0
        buttons = form.field("buttonar").elements
        assert [(b.type, b.name, b.value) for b in buttons] == [
            ("submit", "submitbutton", "Save changes"),
            ("cancel", "cancel", "Cancel"),
        ]

    @pytest.mark.unit
    def test_new_post_submit_label(self, db_session, forum_data, records):
        form = build(db_session, forum_data.student_id, reply_draft(forum_data), records)
        assert form.field("buttonar").elements[0].value == "Post to forum"

    @pytest.mark.unit
    def test_pinned_for_teacher_on_root(self, db_session, forum_data, records):
        form = build(db_session, forum_data.teacher_id, reply_draft(forum_data, parent=0), records)

        assert form.names.index("pinned") == form.names.index("discussionsubscribe") + 1
        assert form.field("pinned").help == ("discussionpinned", "forum")

    @pytest.mark.unit
    def test_no_pinned_for_replies(self, db_session, forum_data, records):
        form = build(db_session, forum_data.teacher_id, reply_draft(forum_data), records)
        assert "pinned" not in form

    @pytest.mark.unit
    def test_no_pinned_without_capability(self, db_session, forum_data, records):
        form = build(db_session, forum_data.student_id, reply_draft(forum_data, parent=0), records)
        assert "pinned" not in form


class TestSubscriptionField:
    """Tests for the three discussionsubscribe variants."""

    @pytest.mark.unit
    def test_forced_subscription(self, db_session, forum_data, records):
        records[0].forcesubscribe = FORUM_FORCESUBSCRIBE
        form = build(db_session, forum_data.teacher_id, reply_draft(forum_data), records)

        field = form.field("discussionsubscribe")
        assert field.frozen is True
        assert field.help == ("forcesubscribed", "forum")
        assert form.defaults["discussionsubscribe"] == 0

    @pytest.mark.unit
    def test_disallowed_subscription_for_student(self, db_session, forum_data, records):
        records[0].forcesubscribe = FORUM_DISALLOWSUBSCRIBE
        form = build(db_session, forum_data.student_id, reply_draft(forum_data), records)

        field = form.field("discussionsubscribe")
        assert field.frozen is True
        assert field.help == ("disallowsubscription", "forum")

    @pytest.mark.unit
    def test_disallowed_subscription_managers_can_choose(self, db_session, forum_data, records):
        records[0].forcesubscribe = FORUM_DISALLOWSUBSCRIBE
        form = build(db_session, forum_data.teacher_id, reply_draft(forum_data), records)

        field = form.field("discussionsubscribe")
        assert field.frozen is False
        assert field.help == ("discussionsubscription", "forum")

    @pytest.mark.unit
    def test_default_follows_subscription(self, db_session, forum_data, records):
        forum, _, discussion = records
        form = build(db_session, forum_data.student_id, reply_draft(forum_data), records, with_discussion=True)
        assert form.defaults["discussionsubscribe"] == 0

        set_discussion_subscription(db_session, forum, discussion, forum_data.student_id, True)
        form = build(db_session, forum_data.student_id, reply_draft(forum_data), records, with_discussion=True)
        assert form.defaults["discussionsubscribe"] == 1


class TestGroupFields:
    """Tests for the group selection of group-mode forums."""

    @pytest.fixture
    def groups(self, db_session, forum_data, records):
        records[0].groupmode = SEPARATEGROUPS
        red = Group(course_id=forum_data.course_id, name="Red")
        blue = Group(course_id=forum_data.course_id, name="Blue")
        db_session.add_all([red, blue])
        db_session.flush()
        db_session.add_all(
            [
                GroupMember(group_id=red.id, user_id=forum_data.student_id),
                GroupMember(group_id=blue.id, user_id=forum_data.student_id),
            ]
        )
        db_session.flush()
        return red, blue

    @pytest.mark.unit
    def test_teacher_new_post_selects_all_participants_first(self, db_session, forum_data, records, groups):
        red, blue = groups
        form = build(db_session, forum_data.teacher_id, reply_draft(forum_data, parent=0), records)

        field = form.field("groupinfo")
        assert field.type == "select"
        assert list(field.options) == [-1, red.id, blue.id]
        assert field.options[-1] == "All participants"
        assert form.defaults["groupinfo"] == -1
        assert "posttomygroups" not in form

    @pytest.mark.unit
    def test_post_to_my_groups(self, db_session, forum_data, records, groups):
        grant(db_session, forum_data.student_id, POST_TO_MY_GROUPS, forum_data.module_context_id)
        form = build(db_session, forum_data.student_id, reply_draft(forum_data, parent=0), records)

        assert "posttomygroups" in form
        assert form.names.index("posttomygroups") < form.names.index("groupinfo")
        assert form.dependencies["groupinfo"] == [("posttomygroups", "checked")]
        assert -1 not in form.field("groupinfo").options

    @pytest.mark.unit
    def test_edit_without_move_shows_group_name(self, db_session, forum_data, records, groups):
        red, _ = groups
        draft = reply_draft(forum_data, parent=0, id=forum_data.root_post_id, edit=True, groupid=red.id)
        form = build(db_session, forum_data.student_id, draft, records)

        field = form.field("groupinfo")
        assert field.type == "static"
        assert field.value == "Red"

    @pytest.mark.unit
    def test_edit_with_move_can_select(self, db_session, forum_data, records, groups):
        draft = reply_draft(forum_data, parent=0, id=forum_data.root_post_id, edit=True)
        form = build(db_session, forum_data.teacher_id, draft, records)

        assert form.field("groupinfo").type == "select"

    @pytest.mark.unit
    def test_reply_shows_static_group(self, db_session, forum_data, records, groups):
        form = build(db_session, forum_data.teacher_id, reply_draft(forum_data), records)

        field = form.field("groupinfo")
        assert field.type == "static"
        assert field.value == "All participants"


class TestThresholdWarning:
    """Tests for the post threshold warning."""

    def context(self, db_session, forum_data, records, warning, **draft_overrides):
        forum, course, _ = records
        return PostFormContext(
            course=course,
            forum=forum,
            post=reply_draft(forum_data, **draft_overrides),
            capabilities=CapabilityChecker(db_session, forum_data.student_id),
            storage=FileStorage(db_session),
            module_context_id=forum_data.module_context_id,
            course_context_id=forum_data.course_context_id,
            threshold_warning=warning,
        )

    @pytest.mark.unit
    def test_warning_is_first_field(self, db_session, forum_data, records):
        warning = ThresholdWarning(canpost=True, errorcode="postsremaining", additional={"remaining": 3})
        form = Form()
        PostInlineForm(form, self.context(db_session, forum_data, records, warning)).definition()

        assert form.names[0] == "thresholdwarning"
        assert "You can post 3 more times" in form.field("thresholdwarning").value

    @pytest.mark.unit
    def test_no_warning_when_blocked_or_editing(self, db_session, forum_data, records):
        blocked = ThresholdWarning(canpost=False, errorcode="postsremaining", additional={"remaining": 0})
        form = Form()
        PostInlineForm(form, self.context(db_session, forum_data, records, blocked)).definition()
        assert "thresholdwarning" not in form

        warning = ThresholdWarning(canpost=True, errorcode="postsremaining", additional={"remaining": 3})
        form = Form()
        context = self.context(db_session, forum_data, records, warning, id=forum_data.reply_post_id, edit=True)
        PostInlineForm(form, context).definition()
        assert "thresholdwarning" not in form


class TestEditorOptions:
    """Tests for editor_options()."""

    @pytest.mark.unit
    def test_upload_limit_is_smallest_non_zero(self):
        assert get_user_max_upload_file_size(0, 0, 0) == 0
        assert get_user_max_upload_file_size(500, 0, 2000) == 500

    @pytest.mark.unit
    def test_options(self, db_session, forum_data, records, monkeypatch):
        forum, course, _ = records
        forum.maxbytes = 5000
        monkeypatch.setattr(settings, "max_upload_bytes", 1000)

        options = editor_options(
            FileStorage(db_session), forum_data.module_context_id, forum_data.root_post_id, course, forum
        )

        assert options.maxfiles == EDITOR_UNLIMITED_FILES
        assert options.maxbytes == 1000
        assert options.trusttext is True
        assert options.return_types == FILE_INTERNAL | FILE_EXTERNAL
        assert options.subdirs is False

    @pytest.mark.unit
    def test_subdirs_follow_post_area(self, db_session, forum_data, records):
        forum, course, _ = records
        storage = FileStorage(db_session)
        storage.create_file_from_string(
            FileRecord(forum_data.module_context_id, "mod_forum", "post", forum_data.root_post_id, "/img/", "a.png"),
            b"png",
        )

        options = editor_options(storage, forum_data.module_context_id, forum_data.root_post_id, course, forum)

        assert options.subdirs is True
        assert options.as_dict()["subdirs"] is True


class TestForm:
    """Tests for Form rules and cleaning."""

    @pytest.fixture
    def form(self):
        form = Form()
        form.add_field(FormField("text", "subject"))
        form.set_type("subject", "text")
        form.add_rule("subject", "required", "Required")
        form.add_rule("subject", "maxlength", "Too long", 10)
        form.add_field(FormField("editor", "message"))
        form.add_rule("message", "required", "Required")
        form.add_field(FormField("hidden", "reply"))
        form.set_type("reply", PARAM_INT)
        return form

    @pytest.mark.unit
    def test_valid_data(self, form):
        assert form.validate({"subject": "Hello", "message": {"text": "<p>Hi</p>"}}) == {}

    @pytest.mark.unit
    def test_required(self, form):
        errors = form.validate({"subject": "   ", "message": {"text": "<p> </p>"}})
        assert errors == {"subject": "Required", "message": "Required"}

    @pytest.mark.unit
    def test_missing_values_are_required(self, form):
        assert form.validate({}) == {"subject": "Required", "message": "Required"}

    @pytest.mark.unit
    def test_maxlength(self, form):
        errors = form.validate({"subject": "x" * 11, "message": "<p>Hi</p>"})
        assert errors == {"subject": "Too long"}

    @pytest.mark.unit
    def test_clean(self, form):
        cleaned = form.clean({"subject": "<b>Hello</b> ", "reply": "7", "unknown": "x"})
        assert cleaned == {"subject": "Hello", "reply": 7}

    @pytest.mark.unit
    def test_clean_bad_int(self, form):
        assert form.clean({"reply": "abc"}) == {"reply": 0}

    @pytest.mark.unit
    def test_frozen_fields_are_not_cleaned(self, form):
        form.freeze("reply")
        assert form.clean({"reply": "7"}) == {}

    @pytest.mark.unit
    def test_builder_errors(self, form):
        with pytest.raises(ValueError):
            form.add_field(FormField("text", "subject"))
        with pytest.raises(ValueError):
            form.add_rule("subject", "email", "Bad")
        with pytest.raises(KeyError):
            form.field("missing")
