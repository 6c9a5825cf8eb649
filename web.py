from dotenv import load_dotenv
from flask import Flask, Response, render_template_string

import config
from export import export_filename, render_csv
from repository import load_log

load_dotenv()

app = Flask(__name__)


def load_guests():
    return load_log(config.guests_path()).active()


TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <title>RSVP Admin</title>
    <style>
        body { font-family: sans-serif; margin: 2rem; background: #f4f4f4; }
        .container { max-width: 1200px; margin: auto; background: white; padding: 2rem; border-radius: 8px; box-shadow: 0 0 10px rgba(0,0,0,0.1); }
        h1, h2 { color: #333; }
        table { width: 100%; border-collapse: collapse; margin-bottom: 2rem; font-size: 0.9em; }
        th, td { padding: 8px; border: 1px solid #ddd; text-align: left; }
        th { background: #eee; }
        .badge { display: inline-block; padding: 2px 6px; border-radius: 4px; font-size: 0.8em; background: #ddd; }
    </style>
    <script>
        function reloadData() {
            setTimeout(() => location.reload(), 5000);
        }
    </script>
</head>
<body onload="reloadData()">
    <div class="container">
        <h1>Admin Dashboard</h1>
        {% if not guests %}
            <p>No signups yet.</p>
        {% else %}
            <p>
                <strong>Guests:</strong> <span class="badge">{{ guests|length }}</span> |
                <strong>+1s:</strong> <span class="badge">{{ avec_count }}</span> |
                <strong>Total attendees:</strong> <span class="badge">{{ guests|length + avec_count }}</span> |
                <a href="/export.csv">Download CSV</a>
            </p>
            <h2>Guest List</h2>
            <table>
                <tr><th>Name</th><th>Username</th><th>Language</th><th>+1</th><th>+1 Username</th><th>Updated</th></tr>
                {% for g in guests %}
                <tr>
                    <td>{{ g.full_name }}</td>
                    <td>{{ '@' ~ g.telegram_username if g.telegram_username else '-' }}</td>
                    <td>{{ g.language }}</td>
                    <td>{{ g.avec_full_name or '-' }}</td>
                    <td>{{ '@' ~ g.avec_username if g.avec_username else '-' }}</td>
                    <td>{{ g.timestamp.strftime('%Y-%m-%d %H:%M:%S') }}</td>
                </tr>
                {% endfor %}
            </table>
        {% endif %}
    </div>
</body>
</html>
"""


@app.route('/')
def dashboard():
    guests = load_guests()
    avec_count = sum(1 for g in guests if g.avec_full_name)
    return render_template_string(TEMPLATE, guests=guests, avec_count=avec_count)


@app.route('/export.csv')
def export_csv_download():
    return Response(
        render_csv(load_guests()),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={export_filename()}'},
    )


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000)
