import logging
import os
from decimal import Decimal, InvalidOperation
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, abort, flash, render_template, request, redirect, session, url_for
from supabase import AuthError, create_client, Client, ClientOptions

from backend_client import BackendClient, BackendError

load_dotenv()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("apostas.frontend")

app = Flask(__name__)
app.secret_key = os.getenv("FLASK_SECRET_KEY", "dev-secret-change-in-production")

BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5000")

# Mensagens exibidas para cada status devolvido pela API
ERROR_MESSAGES = {
    400: 'Não foi possível concluir: verifique os dados informados.',
    401: 'Você precisa estar logado via Google para continuar.',
    403: 'Apenas o criador da aposta pode fazer isso.',
    404: 'Aposta não encontrada.',
    409: 'Esta aposta já foi finalizada.',
    410: 'Esta aposta foi excluída.',
}

SESSION_EXPIRED_MESSAGE = 'Sua sessão expirou. Entre novamente com o Google.'
LOGIN_KEYS = ('access_token', 'email', 'name')


class FlaskSessionStorage:
    """Storage do supabase-auth no cookie de sessão do visitante (guarda o code verifier do PKCE)"""

    def get_item(self, key: str) -> Optional[str]:
        return session.get(f'sb:{key}')

    def set_item(self, key: str, value: str) -> None:
        session[f'sb:{key}'] = value

    def remove_item(self, key: str) -> None:
        session.pop(f'sb:{key}', None)


def get_auth_client() -> Client:
    """Client Supabase por requisição, usado só para o login OAuth (fluxo PKCE)"""
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_ANON_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL e SUPABASE_ANON_KEY são obrigatórios no .env")
    options = ClientOptions(
        flow_type="pkce",
        storage=FlaskSessionStorage(),
        auto_refresh_token=False,
        persist_session=False,
    )
    return create_client(url, key, options=options)


def get_backend_client() -> BackendClient:
    return BackendClient(BACKEND_URL, access_token=session.get('access_token'))


def current_user():
    if 'email' not in session:
        return None
    return {'email': session['email'], 'name': session.get('name')}


def drop_rejected_login(error: BackendError) -> bool:
    """API recusou o token guardado (expirado/inválido): esquece o login"""
    if error.status_code != 401 or 'access_token' not in session:
        return False
    logger.info("Backend rejected access token for %s, clearing login", session.get('email'))
    for key in LOGIN_KEYS:
        session.pop(key, None)
    return True


def error_message(error: BackendError) -> str:
    if drop_rejected_login(error):
        return SESSION_EXPIRED_MESSAGE
    if error.status_code in (400, 409):
        return f"{ERROR_MESSAGES[error.status_code]} ({error.detail})"
    return ERROR_MESSAGES.get(error.status_code, 'Erro ao comunicar com o servidor. Tente novamente.')


@app.template_filter('brl')
def format_brl(value) -> str:
    """Decimal/str da API -> 'R$ 1.234,56'"""
    try:
        amount = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError):
        return f'R$ {value}'
    formatted = f'{amount:,.2f}'.replace(',', 'X').replace('.', ',').replace('X', '.')
    return f'R$ {formatted}'


@app.context_processor
def inject_user():
    return {'user': current_user()}


# Rota para a lista de apostas
@app.route('/')
def index():
    try:
        bets = get_backend_client().list_bets()
    except BackendError as e:
        logger.error("Failed to load bets: %s", e.detail)
        flash('Erro ao carregar apostas', 'error')
        bets = []
    return render_template('index.html', bets=bets)


# Rota para a página de criação de aposta
@app.route('/create_bet', methods=['GET', 'POST'])
def create_bet():
    if current_user() is None:
        flash(ERROR_MESSAGES[401], 'error')
        return redirect(url_for('index'))

    if request.method == 'POST':
        form = request.form
        payload = {
            'title': form.get('title', ''),
            'description': form.get('description') or None,
            # O formulário sempre envia todos os campos de opção; os vazios são ignorados
            'options': [option.strip() for option in form.getlist('options') if option.strip()],
            'closing_at': form.get('closing_at', ''),
            'stake_amount': form.get('stake_amount', ''),
            'creator_name': form.get('creator_name') or None,
            'visibility': form.get('visibility', 'public'),
            'allow_anonymous_voting': form.get('allow_anonymous_voting') == 'on',
        }
        try:
            bet = get_backend_client().create_bet(payload)
        except BackendError as e:
            flash(error_message(e), 'error')
            return render_template('create_bet.html', form=form), 400
        return redirect(url_for('bet_detail', bet_id=bet['id']))

    return render_template('create_bet.html', form={})


# Rota para a aposta (placar, votos e prêmio)
@app.route('/bet/<bet_id>')
def bet_detail(bet_id):
    try:
        detail = get_backend_client().get_bet(bet_id)
    except BackendError as e:
        if e.status_code == 401:
            if drop_rejected_login(e):
                flash(SESSION_EXPIRED_MESSAGE, 'error')
            return render_template('login_required.html'), 401
        if e.status_code == 410:
            return render_template('bet_deleted.html'), 410
        if e.status_code == 404:
            abort(404)
        flash(error_message(e), 'error')
        return redirect(url_for('index'))

    user = current_user()
    is_creator = user is not None and user['email'] == detail['bet']['creator_email']
    share_url = url_for('bet_detail', bet_id=bet_id, _external=True)
    return render_template(
        'bet.html', detail=detail, bet=detail['bet'], is_creator=is_creator, share_url=share_url,
    )


@app.route('/bet/<bet_id>/vote', methods=['POST'])
def vote(bet_id):
    try:
        get_backend_client().vote(
            bet_id,
            request.form.get('option', ''),
            voter_name=request.form.get('voter_name') or None,
        )
        flash('Aposta registrada com sucesso!', 'success')
    except BackendError as e:
        flash(error_message(e), 'error')
    return redirect(url_for('bet_detail', bet_id=bet_id))


@app.route('/bet/<bet_id>/finalize', methods=['POST'])
def finalize(bet_id):
    try:
        get_backend_client().finalize(bet_id, request.form.get('result', ''))
        flash('Aposta finalizada com sucesso!', 'success')
    except BackendError as e:
        flash(error_message(e), 'error')
    return redirect(url_for('bet_detail', bet_id=bet_id))


@app.route('/bet/<bet_id>/delete', methods=['POST'])
def delete(bet_id):
    try:
        get_backend_client().delete(bet_id)
    except BackendError as e:
        flash(error_message(e), 'error')
        return redirect(url_for('bet_detail', bet_id=bet_id))
    flash('Aposta excluída.', 'success')
    return redirect(url_for('index'))


@app.route('/bet/<bet_id>/votes/<vote_id>/toggle', methods=['POST'])
def toggle_vote(bet_id, vote_id):
    try:
        get_backend_client().toggle_vote(vote_id)
    except BackendError as e:
        flash(error_message(e), 'error')
    return redirect(url_for('bet_detail', bet_id=bet_id))


# Rotas de login (Google via Supabase Auth)
@app.route('/login')
def login():
    response = get_auth_client().auth.sign_in_with_oauth({
        'provider': 'google',
        'options': {'redirect_to': f'{FRONTEND_URL}/auth/callback'},
    })
    return redirect(response.url)


@app.route('/auth/callback')
def auth_callback():
    code = request.args.get('code')
    logger.info("Auth callback called (code present: %s)", bool(code))

    if code:
        try:
            auth_response = get_auth_client().auth.exchange_code_for_session({'auth_code': code})
        except AuthError as e:
            logger.warning("Code exchange failed: %s", e)
            flash('Não foi possível concluir o login. Tente novamente.', 'error')
            return redirect(url_for('index'))
        metadata = auth_response.user.user_metadata or {}
        session['access_token'] = auth_response.session.access_token
        session['email'] = auth_response.user.email
        session['name'] = metadata.get('full_name') or metadata.get('name')

    return redirect(url_for('index'))


@app.route('/logout')
def logout():
    session.clear()
    return redirect(url_for('index'))


@app.errorhandler(404)
def not_found(error):
    return render_template('not_found.html'), 404


if __name__ == '__main__':
    app.run(debug=True)
