from flask import Blueprint, render_template, redirect, url_for
from flask_login import login_required, current_user

from services import document_store

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    if current_user.is_authenticated:
        return redirect(url_for('main.dashboard'))
    return render_template('index.html')


@main_bp.route('/dashboard')
@login_required
def dashboard():
    documents = document_store.list_for_owner(current_user.id)
    return render_template('dashboard.html', documents=documents)
