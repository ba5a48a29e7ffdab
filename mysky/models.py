import datetime

from peewee import Model, SqliteDatabase, TextField, DateTimeField

from mysky import config

db = SqliteDatabase(config.DATABASE_PATH)


class Session(Model):
    token = TextField(unique=True)
    did = TextField()
    handle = TextField()
    session_string = TextField()   # exported by atproto Client.export_session_string()
    created_at = DateTimeField(default=datetime.datetime.now)

    class Meta:
        database = db


def init_db():
    db.create_tables([Session], safe=True)
