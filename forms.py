from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import BooleanField, HiddenField, PasswordField, StringField, SubmitField
from wtforms.validators import DataRequired, Email, EqualTo, Length, Optional


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[
        DataRequired(message='Please enter your email'),
        Email()
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Please enter your password')
    ])
    next = HiddenField()
    submit = SubmitField('Sign in')


class SignupForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=6)])
    confirm_password = PasswordField('Confirm Password',
                                     validators=[DataRequired(),
                                                 EqualTo('password', message='Passwords do not match')])
    submit = SubmitField('Create account')


class DocumentUploadForm(FlaskForm):
    name = StringField('Document Name', validators=[Optional(), Length(max=255)])
    file = FileField('PDF Document', validators=[FileRequired(message='Please select a file to upload')])
    submit = SubmitField('Upload Document')


class SignatureUploadForm(FlaskForm):
    name = StringField('Signature Name', validators=[Optional(), Length(max=120)])
    file = FileField('Signature Image', validators=[FileRequired(message='Please select an image')])
    make_default = BooleanField('Use as my default signature')
    submit = SubmitField('Save Signature')
