import time

from flask import Blueprint, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the fight picks server!'})

@main.route('/api/server-time', methods=['GET'])
def server_time():
    # Clients offset their clock by this to run the start countdown in sync
    return jsonify({'server_time': int(time.time() * 1000)})
